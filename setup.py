"""
ontoslice: Term-Driven Ontology Module Extraction
Package Setup Configuration
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

setup(
    name="ontoslice",
    version="0.1.0",
    author="ontoslice developers",
    description="Term-driven module extraction (MIREOT, STAR/TOP/BOT) for ontology import files",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "Topic :: Scientific/Engineering :: Information Analysis",
    ],
    keywords=[
        "ontology",
        "owl",
        "module-extraction",
        "mireot",
        "syntactic-locality",
        "obo",
        "semantic-web",
    ],
    python_requires=">=3.9",
    install_requires=[
        "networkx>=2.6.0",
        "rdflib>=6.0.0",
        "pyyaml>=6.0",
        "psutil>=5.8.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=3.0.0",
            "black>=22.0.0",
            "isort>=5.10.0",
            "mypy>=0.950",
            "flake8>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ontoslice=ontoslice.cli:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
