"""Setup script for hataraku package."""

from setuptools import setup, find_packages

setup(
    name="hataraku",
    version="0.1.0",
    description="An agent framework for multi-step, tool-using tasks with configurable model providers",
    packages=find_packages(include=["hataraku", "hataraku.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml>=6.0",
        "httpx>=0.25.0",
        "pydantic>=2.0",
    ],
    extras_require={
        "openai": ["openai>=1.26"],
        "anthropic": ["anthropic>=0.25"],
        "mistral": ["mistralai>=1.0"],
        "all": [
            "openai>=1.26",
            "anthropic>=0.25",
            "mistralai>=1.0",
        ],
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "hataraku=hataraku.main:main",
        ],
    },
    package_data={
        "hataraku": ["config/default_config.yaml"],
    },
)
