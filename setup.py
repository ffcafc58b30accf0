"""
Setup script for the school contact assistant.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="school-contact-assistant",
    version="0.1.0",
    packages=find_packages(include=["src", "src.*"]),
    python_requires=">=3.11",
    install_requires=[
        "python-dotenv>=1.0",
        "pydantic>=2.0",
        "langchain-core>=0.2",
        "langchain-openai>=0.1",
        "tenacity>=8.0",
        "firecrawl-py>=1.0",
        "requests>=2.31",
        "beautifulsoup4>=4.12",
        "json-repair>=0.25",
        "python-docx>=1.0",
        "PyPDF2>=3.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
