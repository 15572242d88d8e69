#!/usr/bin/env python3
"""
Setup script for Plate Finder
Plate tracking, OCR vote validation and target search engine
"""

from setuptools import setup, find_packages
import os

# Read the README file for long description
def read_readme():
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return "License plate tracking and target search engine"

# Read requirements from requirements.txt
def read_requirements():
    req_path = os.path.join(os.path.dirname(__file__), 'requirements.txt')
    if os.path.exists(req_path):
        with open(req_path, 'r', encoding='utf-8') as f:
            return [line.strip() for line in f.readlines()
                   if line.strip() and not line.startswith('#')]
    return ["numpy>=1.21", "supervision>=0.18", "PyYAML>=6.0"]

setup(
    name="plate-finder",
    version="1.0.0",
    description="License plate tracking, OCR vote validation and target search",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    author="Plate Finder Team",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=read_requirements(),
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'plate-finder=plate_finder.main:main',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Scientific/Engineering :: Image Recognition",
    ],
    keywords="license plate tracking ocr voting target search",
)
