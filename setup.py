from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of README.md for long description
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8')

setup(
    name="fastabiome",
    version="0.1.0",

    # Descriptions
    description="Sequence statistics, quality, taxonomic composition and biodiversity indices from FASTA files",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # License
    license="MIT",

    # Package discovery
    packages=find_packages(exclude=["tests", "tests.*", "docs", "examples"]),

    # Include non-Python files specified in MANIFEST.in
    include_package_data=True,

    # Python version requirement
    python_requires=">=3.8",

    # Core dependencies
    install_requires=[
        "biopython>=1.79",
        "pandas>=1.5.0",
        "scipy>=1.7.0",
        "numpy>=1.21.0",
        "pyyaml>=5.4",
    ],

    # Optional dependencies for specific features
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=3.0.0",
            "black>=22.0.0",
            "flake8>=4.0.0",
            "mypy>=0.950",
        ],
    },

    # Command-line interface
    entry_points={
        'console_scripts': [
            'fastabiome=fastabiome.cli:main',
        ],
    },

    # PyPI classifiers
    classifiers=[
        # Development status
        "Development Status :: 3 - Alpha",

        # Intended audience
        "Intended Audience :: Science/Research",
        "Intended Audience :: Developers",

        # Topic areas
        "Topic :: Scientific/Engineering :: Bio-Informatics",

        # License
        "License :: OSI Approved :: MIT License",

        # Supported Python versions
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",

        # Operating systems
        "Operating System :: OS Independent",

        # Other
        "Natural Language :: English",
    ],

    # Keywords for PyPI search
    keywords=[
        "bioinformatics",
        "FASTA",
        "biodiversity",
        "eDNA",
        "metabarcoding",
        "Shannon index",
        "Simpson index",
        "sequence quality",
        "sequence analysis",
    ],

    # Minimum setuptools version
    setup_requires=["setuptools>=45.0"],

    zip_safe=False,
)
