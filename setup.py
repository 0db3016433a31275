"""
Setup script for numeracy-engine.

Numeracy Engine tracks learners through an ordered sequence of arithmetic
levels and screens their recent work for signs of early arithmetic
difficulty. It serves three roles:

1. Progression - Mastery-based level advancement with support fading
2. Screening - Rule-based risk profile with intervention recommendations
3. Offline tooling - Diagnose and replay outcome logs from the terminal

The 'numeracy' command is the entry point.
"""

from setuptools import find_packages, setup

setup(
    name="numeracy-engine",
    version="0.1.0",
    description="Adaptive progression and diagnostic engine for early arithmetic",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["numeracy", "numeracy.*"]),
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
        "postgres": [
            "psycopg2-binary>=2.9.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "numeracy=numeracy.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="numeracy dyscalculia screening mastery progression education",
)
