import argparse
import logging
import sys
import time
from pathlib import Path

from .compiler import source_stats, try_compile
from .config import load_config
from .errors import ConfigError
from .watcher import run_watcher

logger = logging.getLogger('dotweb')


def build(args) -> int:
    source = Path(args.src).read_text()
    headers = [Path(h).read_text() for h in args.header]
    if args.stats:
        stats = source_stats(source)
        print(f"{stats['characters']} characters, {stats['lines']} lines, "
              f"{stats['components']} component(s)", file=sys.stderr)

    result = try_compile(source, headers)
    if not result.ok:
        print(result.error, file=sys.stderr)
        return 1
    if args.output:
        Path(args.output).write_text(result.html)
        logger.info("Compiled %s -> %s", args.src, args.output)
    else:
        sys.stdout.write(result.html + '\n')
    return 0


def watch(args) -> int:
    while True:
        try:
            config = load_config(args.config, Path(args.base))
        except ConfigError as e:
            logger.error("Error: %s", e)
            logger.error("Please check your configuration and try again, attempting to reload in 3 seconds...")
            time.sleep(3)
            continue
        run_watcher(config)
        return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog='dotweb',
        description='Compile DotWeb component markup into standalone HTML documents')
    parser.add_argument('-v', '--verbose', action='store_true', help='enable debug logging')
    commands = parser.add_subparsers(dest='command', required=True)

    build_parser = commands.add_parser('build', help='compile one source file')
    build_parser.add_argument('src')
    build_parser.add_argument('-o', '--output', help='write the HTML here instead of stdout')
    build_parser.add_argument('--header', action='append', default=[],
                              help='component library compiled before the source (repeatable)')
    build_parser.add_argument('--stats', action='store_true', help='print source statistics to stderr')
    build_parser.set_defaults(handler=build)

    watch_parser = commands.add_parser('watch', help='rebuild on change, driven by a YAML config')
    watch_parser.add_argument('config')
    watch_parser.add_argument('--base', default='.', help='directory the config globs are relative to')
    watch_parser.set_defaults(handler=watch)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s - %(message)s',
                        datefmt='%Y-%m-%d %H:%M:%S')
    return args.handler(args)


if __name__ == '__main__':
    sys.exit(main())
