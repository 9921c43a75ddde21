"""
Setup script for culture-connect project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="culture-connect",
    version="0.1.0",
    packages=find_packages(include=["src", "src.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.5",
        "python-dotenv>=1.0",
        "httpx>=0.27",
        "tenacity>=8.2",
        "langchain-core>=0.3",
        "langchain-openai>=0.2",
        "redis>=5.0",
        "fastapi>=0.110",
        "uvicorn>=0.29",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "culture-connect=src.api.server:main",
        ],
    },
)
