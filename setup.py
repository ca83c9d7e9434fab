"""Setup configuration for Fieldmark package."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="fieldmark",
    version="0.1.0",
    author="Fieldmark Contributors",
    description="Persistent, URL-scoped extraction templates with pattern matching and validation",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Internet :: WWW/HTTP :: Indexing/Search",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=8.2.0",
            "pytest-asyncio>=0.23.0",
            "pytest-cov>=4.1.0",
            "pytest-mock>=3.12.0",
            "freezegun>=1.4.0",
            "hypothesis>=6.98.0",
            "httpx>=0.27.0",
        ],
        "server": [
            "uvicorn>=0.29.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "fieldmark=fieldmark.cli:main",
        ],
    },
    include_package_data=True,
    package_data={
        "fieldmark": ["py.typed"],
    },
)
