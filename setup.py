from setuptools import setup, find_packages

setup(
    name="catalog-indexer",
    version="0.1.0",
    package_dir={"": "packages"},
    packages=find_packages("packages", include=["catalog_indexer", "catalog_indexer.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0.0",
        "pydantic-settings>=2.1.0",
        "python-dotenv>=1.0.0",
        "openai>=1.0.0",
        "aiohttp>=3.8.0",
        "aio-pika>=9.0.0",
        "sqlalchemy[asyncio]>=2.0.0",
        "asyncpg>=0.29.0",
        "opentelemetry-api>=1.20.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "aiosqlite>=0.19.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "catalog-indexer=catalog_indexer.cli:main",
        ],
    },
)
