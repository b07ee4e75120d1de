from setuptools import setup, find_packages

setup(
    name="zen-lang",
    version="0.1.0",
    description="Zen - s-expression language compiling to WebAssembly",
    packages=find_packages(include=["zen", "zen.*"]),
    python_requires=">=3.10",
    install_requires=[
        "llvmlite>=0.41.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
            "wasmtime>=14.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "zen=zen.cli:main",
            "zen-server=zen.api_server:main",
        ],
    },
)
