"""Package jstore: crash-tolerant JSON Lines store + CLI."""

from setuptools import find_packages, setup

setup(
    name="jstore",
    version="0.1.0",
    description="Append-only, crash-tolerant JSON Lines store",
    python_requires=">=3.11",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "click>=8.1",
        "rich>=13",
    ],
    extras_require={
        "test": ["pytest>=8"],
    },
    entry_points={
        "console_scripts": ["jstore=jstore.cli:cli"],
    },
)
