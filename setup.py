#!/usr/bin/env python3

import setuptools


VERSION = (0, 1, 0)


def version_str(version):
    return ".".join(map(str, version))


install_requires = []
with open("requirements.txt") as f:
    install_requires = f.read().splitlines()

setuptools.setup(
    name="orthosfm",
    version=version_str(VERSION),
    description="Geometric filtering of image matches with orthographic cameras",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="BSD",
    packages=setuptools.find_packages(),
    scripts=[
        "bin/orthosfm_main.py",
    ],
    install_requires=install_requires,
    extras_require={
        "test": ["pytest"],
    },
)
