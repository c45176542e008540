"""
setup.py

Packaging metadata and CLI entry point for sheet-enricher.

Version: 0.3.0 - CSV record store, per-field and single-prompt templates,
result cache and dry-run cost estimates.
"""
from setuptools import setup, find_packages

setup(
    name="sheet-enricher",
    version="0.3.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        "enricher.enrichment.templates": ["builtin/*.yaml"],
    },
    install_requires=[
        "click",
        "pydantic>=2.0",
        "jinja2",
        "pyyaml",
        "python-dotenv",
        "anthropic",
        "openai",
        "tiktoken",
        "tqdm",
        "pandas",
    ],
    extras_require={
        "test": [
            "pytest",
            "hypothesis",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "sheet-enricher=cli:cli",
        ],
    },
    python_requires=">=3.9",
)
