import setuptools

try:
    with open("README.md", "r", encoding="utf-8") as fh:
        long_description = fh.read()
except FileNotFoundError:
    long_description = "Package, validate and publish Python functions to AWS Lambda"

setuptools.setup(
    name="fnpublish",
    version="0.1.0",
    description="Package, validate and publish Python functions to AWS Lambda",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=setuptools.find_packages(where="src", include=["fnpublish", "fnpublish.*"]),
    install_requires=[
        "boto3",
        "botocore",
        "pydantic>=2.0",
        "typer",
        "rich",
        "python-dotenv",
        "pathspec>=0.10.1",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "fnpublish=fnpublish.cli.main:app",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
)
