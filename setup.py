"""
Setup script for lbm_airfoil package.
"""

from setuptools import setup, find_packages

setup(
    name="lbm_airfoil",
    version="0.1.0",
    description="Lattice Boltzmann wind tunnel simulation around a NACA airfoil",
    author="Andrey",
    packages=find_packages(include=["lbm_airfoil", "lbm_airfoil.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20",
        "numba>=0.56",
        "matplotlib>=3.5",
        "scipy>=1.7",
        "pydantic>=2.0",
    ],
    extras_require={
        "dev": ["pytest>=7.0", "black", "flake8"],
        "test": ["pytest>=7.0"],
    },
)
