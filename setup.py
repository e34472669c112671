from setuptools import setup, find_packages

setup(
    name="fxprotocol",
    version="1.0.0",
    description="Client for the f(x) Protocol REST API with local transaction signing",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "aiohttp>=3.9",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "structlog",
        "redis>=5.0.1",
        "sqlalchemy>=2.0",
        "pycryptodome",
        "prometheus-client",
        "eth-account>=0.13",
        "eth-utils",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    python_requires=">=3.9",
)
