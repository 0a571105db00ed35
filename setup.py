#!/usr/bin/env python
"""
Setup file for the exostore module.
"""
from setuptools import find_packages, setup

# Read the readme from /exostore/README.rst. As long as we are in the
# project directory, this should be accessible directly in path.
with open("README.rst", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Setup function
setup(
    name="exostore",
    version="0.1.0",
    description="Exodus II finite element mesh and results storage on HDF5.",
    long_description=long_description,
    long_description_content_type="text/x-rst",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "ruamel.yaml",
        "h5py",
    ],
    extras_require={
        "test": ["pytest"],
    },
    classifiers=[
        "Intended Audience :: Science/Research",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering",
    ],
    package_data={"exostore": ["bin/*.yaml"]},
    include_package_data=True,
    python_requires=">=3.8",
)
