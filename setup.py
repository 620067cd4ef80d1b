"""
Setup script for the REGO Trading Registry
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="rego-registry",
    version="1.0.0",
    description="Issuance, trading and redemption of Renewable Energy Guarantees of Origin",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["rego_registry", "rego_registry.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=8.0",
            "httpx>=0.27",
        ],
    },
    entry_points={
        "console_scripts": [
            "rego-api=rego_registry.main:main",
            "rego-expire=rego_registry.rego.expiry_task:main",
            "rego-trade-statistics=rego_registry.rego_trade_info.statistics_task:main",
        ],
    },
)
