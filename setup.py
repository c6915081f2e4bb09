from setuptools import setup, find_packages

setup(
    name="ledgercheck",
    version="0.1.0",
    description="Booking error detection for period-end ledger reviews",
    packages=find_packages(include=["ledgercheck", "ledgercheck.*"]),
    package_data={
        "ledgercheck": ["data/*.yaml"],
    },
    python_requires=">=3.8",
    install_requires=[
        # Core dependencies
        "pydantic>=2",
        "pyyaml",

        # Booking sources
        "sqlalchemy>=1.4",
        "pandas",
        "openpyxl",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "ledgercheck=ledgercheck.cli:main",
        ],
    },
)
