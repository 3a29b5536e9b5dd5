"""Setup configuration for pyslp."""

from setuptools import setup, find_packages

setup(
    name="pyslp",
    version="0.1.0",
    description="Service Location Protocol (RFC 2608) client library and tool",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pyyaml>=6.0",
        "click>=8.1.0",
        "netifaces2",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis",
        ],
    },
    entry_points={
        "console_scripts": [
            "pyslp-tool=pyslp.cli:main",
        ],
    },
)
