import logging
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .assembler import render_error_page
from .compiler import try_compile
from .config import BuildConfig

logger = logging.getLogger(__name__)


def trigger_recompile(config: BuildConfig) -> int:
    """Rebuilds every write pair with a fresh compiler. Returns the number of failed builds."""
    try:
        headers = [Path(h).read_text() for h in sorted(config.headers)]
    except OSError as e:
        logger.error("Cannot read header files: %s", e)
        return len(config.write_pairs)

    failures = 0
    for src, dst in config.write_pairs.items():
        # editors may briefly remove a file while saving it
        try:
            result = try_compile(Path(src).read_text(), headers)
            if result.ok:
                Path(dst).write_text(result.html)
                logger.info("Compiled %s -> %s", src, dst)
            else:
                Path(dst).write_text(render_error_page(result.error))
                logger.error("Failed to compile %s: %s", src, result.error)
                failures += 1
        except OSError as e:
            failures += 1
            logger.error("Cannot build %s -> %s: %s", src, dst, e)
    return failures


class ChangeHandler(FileSystemEventHandler):
    def __init__(self, config: BuildConfig):
        self.config = config
        self.files_to_watch = {p.resolve() for p in config.watched_files}
        logger.info("Handler initialized. Monitoring for changes...")

    def on_modified(self, event):
        if event.is_directory:
            return

        # Resolve path and check if it's one we care about
        src_path_abs = Path(event.src_path).resolve()
        if src_path_abs in self.files_to_watch:
            logger.info("Detected modification in: %s", src_path_abs)
            trigger_recompile(self.config)


def run_watcher(config: BuildConfig):
    """Builds once, then sets up and runs the watchdog observer."""
    dirs_to_watch = {p.parent for p in config.watched_files}
    if not dirs_to_watch:
        logger.error("No valid directories provided to watch.")
        return

    trigger_recompile(config)

    event_handler = ChangeHandler(config)
    observer = Observer()

    scheduled_count = 0
    for dir_path in dirs_to_watch:
        if not dir_path.is_dir():
            logger.warning("Directory '%s' does not exist. Cannot watch.", dir_path)
            continue

        # recursive=False: only files directly inside the directory
        observer.schedule(event_handler, str(dir_path), recursive=False)
        scheduled_count += 1
        logger.info("Scheduled watcher for directory: %s", dir_path)

    if scheduled_count == 0:
        logger.error("No watchers were successfully scheduled. Exiting.")
        return

    observer.start()
    logger.info("Watching for file changes in %d director%s. Press Ctrl+C to stop.",
                scheduled_count, 'y' if scheduled_count == 1 else 'ies')

    try:
        while observer.is_alive():
            observer.join(timeout=1)
    except KeyboardInterrupt:
        logger.info("Stopping watcher (Ctrl+C pressed)...")
    finally:
        if observer.is_alive():
            observer.stop()
        observer.join()
        logger.info("Watcher stopped completely.")
