"""
DocStore setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="docstore",
    version="1.0.0",
    description="DocStore — sharded document storage with role-based visibility",
    packages=find_packages(include=["docstore", "docstore.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "docstore=docstore.cli:main",
        ],
    },
    install_requires=[
        "sqlalchemy[asyncio]>=2.0",
        "pydantic>=2.5",
        "pyyaml>=6.0",
        "azure-storage-blob>=12.19",
        "azure-identity>=1.15",
        "aiohttp>=3.9",
        "asyncpg>=0.29",
    ],
    extras_require={
        "tests": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "aiosqlite>=0.19",
        ],
    },
)
