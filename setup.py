"""
Setup script for privilege-lineage package.
"""

from setuptools import find_packages, setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="privilege-lineage",
    version="1.0.0",
    author="Privilege Lineage Contributors",
    description="Privilege lineage resolver for PostgreSQL-style role systems",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/your-org/privilege-lineage",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Database",
        "Topic :: Security",
    ],
    python_requires=">=3.10",
    install_requires=[
        "sqlglot>=20.0.0",  # GRANT script tokenizer
        "networkx>=3.1",
        "tabulate>=0.9.0",
        "colorama>=0.4.6",  # Colored output
        "SQLAlchemy>=2.0",  # Live catalog source
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov",
            "mypy",
            "black",
            "ruff",
        ],
    },
    entry_points={
        "console_scripts": [
            "privilege-lineage=privilege_lineage.cli:main",
        ],
    },
)
