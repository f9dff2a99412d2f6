"""
Setup script for the arm-motion-recorder package.

This script uses setuptools to package the arm_motion kinematics and
trajectory library together with the arm_motion_studio tools (CSV/ZIP
export, configuration profiles, CLI, replay dashboard and HTTP session
server). It defines metadata, dependencies, and the entry point for the
studio's command-line interface.
"""
import os
import re

from setuptools import find_packages, setup


def get_version_from_init():
    """Reads the __version__ string from arm_motion/__init__.py."""
    init_py_path = os.path.join(
        os.path.dirname(os.path.abspath(__file__)), "arm_motion", "__init__.py"
    )
    try:
        with open(init_py_path, "r", encoding="utf-8") as f_version:
            version_file_content = f_version.read()
        version_match = re.search(
            r"^__version__\s*=\s*['\"]([^'\"]*)['\"]",
            version_file_content,
            re.M,
        )
        if version_match:
            return version_match.group(1)
        raise RuntimeError(
            f"Unable to find __version__ string in {init_py_path}."
        )
    except FileNotFoundError as exc:
        raise RuntimeError(
            f"{init_py_path} not found. Ensure you are in the correct "
            f"directory."
        ) from exc


try:
    with open("README.md", "r", encoding="utf-8") as f_readme:
        long_description = f_readme.read()
except FileNotFoundError:
    long_description = (
        "Kinematics and trajectory engine for recording 2-link arm motions."
    )


setup(
    name="arm-motion-recorder",
    version=get_version_from_init(),
    description="Kinematics and trajectory engine for recording, smoothing and replaying 2-link arm motions.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where=".", exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering :: Human Machine Interfaces",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    python_requires=">=3.8",
    install_requires=[
        "click>=7.0",  # For the CLI
        "rich>=10.0.0",  # For the replay dashboard
        "fastapi>=0.68.0",  # For the HTTP session server
        "uvicorn>=0.15.0",  # For running the FastAPI server
        "pydantic>=1.8",  # Request models of the HTTP server
    ],
    extras_require={
        "test": [
            "pytest>=6.0",
            "pytest-asyncio>=0.15",
            "pytest-mock>=3.0",
            "httpx",  # Required by fastapi.testclient
        ],
        "dev": [
            "pytest>=6.0",
            "pytest-asyncio>=0.15",
            "pytest-mock>=3.0",
            "httpx",
            "flake8>=3.9",
            "black>=21.0",
            "mypy>=0.900",
        ],
    },
    entry_points={
        "console_scripts": [
            "arm-motion=arm_motion_studio.main:main",
        ],
    },
    keywords="robot arm kinematics inverse-kinematics trajectory motion-capture smoothing",
)
