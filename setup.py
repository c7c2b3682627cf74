from setuptools import setup, find_packages

setup(
    name="dep-pm",
    version="0.1.0",
    description="Gerenciador de pacotes declarativo baseado em clones git, com grafo de dependências.",
    author="Seu Nome",
    license="GPL-3.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "rich>=13.0.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "dep=dep.modules.cli:main",
        ],
    },
)
