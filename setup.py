"""
trajselect Setup Script
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

setup(
    name="trajselect",
    version="0.1.0",
    author="PEAR Lab",
    author_email="",
    description="Reactive obstacle avoidance by uncertainty-aware motion-primitive selection",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=['trajselect', 'trajselect.*']),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Robotics",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "scipy>=1.5.0",
        "matplotlib>=3.3.0",
        "pyyaml>=5.3",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0",
            "pytest-cov>=2.10",
            "black>=20.8b1",
            "flake8>=3.8",
        ],
    },
    include_package_data=True,
    package_data={
        "": ["*.md", "*.yml", "*.yaml"],
    },
)
