"""
Setup script for Gist Agent - AI-narrated news gists from trend records.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="gist-agent",
    version="1.0.0",
    description="Grounded, narrated news gists generated from trend records",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        # Database drivers
        "asyncpg>=0.29.0",
        "redis>=5.0.0",

        # Object storage
        "aioboto3>=12.1.0",
        "botocore>=1.31.0",

        # AI/LLM APIs
        "openai>=1.12.0",

        # HTTP client
        "aiohttp>=3.9.0",

        # Data validation
        "pydantic>=2.5.0",

        # API and scheduling
        "fastapi>=0.109.0",
        "uvicorn>=0.27.0",
        "celery>=5.3.0",

        # Monitoring and observability
        "prometheus-client>=0.19.0",

        # Utilities
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "httpx>=0.26.0",
            "black>=23.12.0",
            "mypy>=1.7.0",
            "ruff>=0.1.8",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    ],
    include_package_data=True,
    zip_safe=False,
)
