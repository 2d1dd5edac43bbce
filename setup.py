from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="zkhe-confidential",
    version="0.1.0",
    author="Hany Almnaem",
    author_email="",
    description="Confidential balances with Pedersen commitments, twisted ElGamal and Bulletproofs (experimental)",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/Hany-Almnaem/privacy-protocol-toolkit-p2p",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Security :: Cryptography",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    python_requires=">=3.9",
    install_requires=[
        "petlib>=0.0.45",
        "cbor2>=5.6.0",
        "click>=8.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=8.0.0",
            "black>=24.0.0",
            "flake8>=7.0.0",
            "mypy>=1.8.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "zkhe=zkhe_confidential.cli:main",
        ],
    },
)
