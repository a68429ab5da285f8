from setuptools import find_packages, setup

setup(
    name="wallbox_stats",
    version="0.1.0",
    description="A daemon deriving wallbox power and runtime from sub meter readings",
    author="Your Name",
    author_email="your.email@example.com",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "httpx>=0.24.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "wallbox-stats=wallbox_stats.entrypoints.daemon:run",
        ],
    },
    python_requires=">=3.10",
)
