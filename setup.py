from setuptools import setup

setup(
    name="dotweb",
    version="0.1.0",
    description="Indentation-based component markup language that compiles to standalone html",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=['dotweb'],
    python_requires=">=3.8",
    install_requires=[
        "watchdog",
        "pyyaml",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'dotweb=dotweb.__main__:main',
        ],
    },
)
