"""
Setup script for the session-plan-pdf project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="session-plan-pdf",
    version="0.1.0",
    packages=find_packages(include=["plan_layout", "plan_layout.*", "plan_pdf_service", "plan_pdf_service.*"]),
    python_requires=">=3.11",
    install_requires=[
        "beautifulsoup4>=4.12",
        "fastapi>=0.110",
        "playwright>=1.40",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "python-dotenv>=1.0",
        "requests>=2.31",
        "tenacity>=8.2",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "httpx>=0.26",
        ],
    },
)
