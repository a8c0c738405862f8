import setuptools


with open("README.md") as f:
    long_description = f.read()


setuptools.setup(
    name="himmel",
    version="0.1.0",
    description="Client orchestration and result model for the himmel ELF/DWARF analysis engine",
    packages=setuptools.find_packages("src"),
    package_dir={"": "src"},
    package_data={
        "himmel": ["py.typed"],
    },
    install_requires=[
        "aiohttp>=3.9.0",
        "beartype>=0.16.0",
        "orjson>=3.9.0",
        "typing_inspect>=0.8.0",
    ],
    extras_require={
        "test": [
            "black",
            "hypothesis>=6.39.3",
            "mypy",
            "pytest",
            "pytest-aiohttp>=1.0.4",
            "pytest-asyncio>=0.21.0",
            "pytest-cov",
        ],
    },
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "Topic :: Security",
        "Typing :: Typed",
    ],
    python_requires=">=3.10",
)
