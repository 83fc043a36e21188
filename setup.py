from setuptools import setup, find_packages

# Import version from the package
from rttypes.version import __version__

setup(
    name="rttypes",
    version=__version__,
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "lark>=1.1.5",
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "typer>=0.9.0",
        "pydantic>=2.0.0",
    ],
    extras_require={
        "numpy": ["numpy>=1.24"],
        "test": ["pytest>=7.0", "httpx>=0.24", "numpy>=1.24"],
    },
    entry_points={
        "console_scripts": [
            "rttypes=rttypes.main:app",
        ],
    },
    python_requires=">=3.9",
)
