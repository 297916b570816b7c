"""Package setup for project-portal."""

from setuptools import setup

setup(
    name="project-portal",
    version="1.0.0",
    description="Project self-service portal: signed API client and CLI form",
    packages=["portal_sdk", "portal_cli"],
    python_requires=">=3.9",
    install_requires=[
        "httpx>=0.24.0",
        "pydantic>=2.0.0",
        "boto3>=1.28.0",
        "botocore>=1.31.0",
        "typer>=0.9.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0.0"],
    },
    entry_points={
        "console_scripts": [
            "portal=portal_cli.cli:app",
        ],
    },
)
