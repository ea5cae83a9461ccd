from setuptools import setup, find_packages

setup(
    name="weather-agent",
    version="0.1.0",
    description="Weather Agent backend – live weather, air quality and LLM summaries",
    package_dir={"": "backend"},
    packages=find_packages(where="backend"),
    install_requires=[
        "httpx>=0.23",
        "fastapi>=0.95",
        "uvicorn>=0.22",
        "python-dateutil>=2.8",
        "geopy>=2.4",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "pytest-httpx>=0.23",
        ],
        "lint": [
            "black>=23.0",
            "flake8>=6.0",
        ],
    },
)
