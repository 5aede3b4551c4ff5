from setuptools import setup, find_packages

setup(
    name="deepread",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "requests>=2.31.0",
        "urllib3>=2.0.0",
        "youtube-transcript-api>=1.0.0",
        "python-dotenv>=1.0.0",
        "colorlog>=6.7.0",
        "fastapi>=0.110.0",
        "pydantic>=2.0.0",
        "uvicorn>=0.27.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "httpx>=0.25.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "deepread-server=server.__main__:main",
        ],
    },
    python_requires=">=3.9",
    description="Fallback-chain YouTube caption fetching for DeepRead",
)
