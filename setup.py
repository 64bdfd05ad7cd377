from setuptools import setup, find_packages

setup(
    name="genetic_series",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "sympy>=1.13.3",
        "numpy>=2.0",
        "regex>=2024.11.6",
        "mpmath>=1.3.0",
    ],
    extras_require={
        "test": ["pytest>=8.0"],
    },
    package_data={
        "genetic_series": ["config/*.json"],  # include all .json under config
    },
    python_requires=">=3.10",
)
