from setuptools import setup, find_packages

setup(
    name="roster_core",
    version="0.1.0",
    description="Core CSV and numbering utilities for group rosters",
    packages=find_packages(),
    install_requires=[
        "pandas>=2.0",
    ],
    python_requires=">=3.10",
)
