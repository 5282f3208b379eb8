"""
Setup script for the JobSpark marketplace project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="jobspark-marketplace",
    version="0.3.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["version"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn[standard]>=0.27",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "python-dotenv>=1.0",
        "httpx>=0.27",
        "tenacity>=8.2",
        "itsdangerous>=2.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
