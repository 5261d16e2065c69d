"""Setup script for ledger reconciliation tool."""
from setuptools import setup, find_packages

setup(
    name="finrecon",
    version="1.0.0",
    description="Bank settlement to general ledger reconciliation with smart fix suggestions",
    author="Your Name",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "requests>=2.31.0",
        "pandas>=2.0.0",
        "rapidfuzz>=3.5.0",
        "openpyxl>=3.1.0",
        "jinja2>=3.1.0",
        "click>=8.1.0",
        "rich>=13.0.0",
        "python-dotenv>=1.0.0",
        "fastapi>=0.100.0",
        "python-multipart>=0.0.6",
        "uvicorn>=0.23.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "httpx>=0.24.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "recon=finrecon.cli:main",
        ],
    },
)
