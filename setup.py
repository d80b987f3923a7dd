"""
Setup script for the warm-path scout project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_namespace_packages

setup(
    name="warmpath-scout",
    version="0.1.0",
    packages=find_namespace_packages(include=["src", "src.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.0",
        "httpx>=0.25",
        "beautifulsoup4>=4.12",
        "python-dotenv>=1.0",
        "pymongo>=4.6",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
)
