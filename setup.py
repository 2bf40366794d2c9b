from setuptools import setup, find_namespace_packages

setup(
    name="masverify",
    version="0.1.0",
    packages=find_namespace_packages(include=["masverify", "masverify.*"]),
    include_package_data=True,
    install_requires=[
        "rich",
        "python-dotenv",
        "lief",
        "toml",
        "rich-argparse",
        "asn1crypto",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "masverify=masverify.cli:main",
        ],
    },
)
