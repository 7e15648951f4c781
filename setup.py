from setuptools import find_packages, setup

setup(
    name="passxc",
    version="0.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "pydantic",
        "pynacl",
        "click",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "passxc=passxc.cli:cli",
        ],
    },
)
