from setuptools import find_packages, setup

with open("hilink/version.py") as f:
    exec(f.read())

setup(
    name="python-hilink",
    version=__version__,  # type: ignore # noqa: F821
    description="Python API for logging into Huawei HiLink web interfaces",
    url="https://github.com/python-hilink/python-hilink",
    author="",
    author_email="",
    license="GPLv3",
    packages=find_packages(include=["hilink", "hilink.*"]),
    install_requires=[
        "aiohttp>=3",
        "asyncclick>=8.1.7",
        "cryptography>=1.9",
        "lxml>=4.9",
        "mashumaro>=3.11",
        "orjson>=3.9",
        "rich>=13",
        "yarl>=1.9",
        "multidict>=6",
    ],
    extras_require={
        "test": [
            "pytest>=8",
            "pytest-asyncio>=0.24",
            "pytest-mock>=3.12",
        ],
    },
    python_requires=">=3.11",
    entry_points={"console_scripts": ["hilink=hilink.cli:cli"]},
    zip_safe=False,
)
