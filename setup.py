"""
Setup script for tasksync.
"""
from setuptools import setup, find_packages

setup(
    name="tasksync",
    version="0.1.0",
    packages=find_packages(include=["tasksync", "tasksync.*"]),
    install_requires=[
        "click>=8.1.0",
        "httpx>=0.25.0",
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "python-ulid>=2.2.0",
        "python-dateutil>=2.8.2",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "tasksync=tasksync.__main__:main",
            "tasks=tasksync.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
