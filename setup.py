# setup.py
"""Setup script for the AI Media Gallery."""

import os

from setuptools import setup, find_packages

setup(
    name="ai-media-gallery",
    version="1.0.0",
    description="Catalogue of AI-generated images and videos with generation metadata extraction",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Media Gallery Team",
    packages=find_packages(),
    python_requires=">=3.9",
    install_requires=[
        "Pillow>=8.0.0",
        "imagehash>=4.0.0",
        "tqdm>=4.50.0",
        "Flask>=2.0",
        "Werkzeug>=2.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
            "pytest-cov>=2.10.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "media-gallery=media_gallery.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Framework :: Flask",
        "Topic :: Multimedia :: Graphics",
    ],
)
