from setuptools import setup, find_packages

setup(
    name="sigcond",
    version="1.0.0",
    description="Configurable, ordered signal conditioning for multichannel time series",
    author="sigcond Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "numpy>=1.24.0",
        "pandas>=2.0.0",
        "scipy>=1.10.0",
        "pydantic>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    python_requires=">=3.8",
)
