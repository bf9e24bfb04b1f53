"""
Setup configuration for IgnoreTouchpad package.
"""

import platform
from setuptools import setup, find_packages

# Read README for long description
try:
    with open("README.md", "r", encoding="utf-8") as fh:
        long_description = fh.read()
except FileNotFoundError:
    long_description = "Enable or disable pointing devices and remember the choice"

# Platform-specific dependencies
def get_platform_dependencies():
    """Get platform-specific dependencies based on the current system."""
    deps = []

    if platform.system().lower() == "linux":
        # The udev backend reads and writes the kernel inhibit switch via pyudev
        deps.extend([
            "pyudev>=0.21.0",
        ])

    return deps


def get_extras():
    """Get extra dependencies."""
    return {
        "dev": [
            "pytest>=6.0",
            "pytest-cov>=2.0",
            "pytest-mock>=3.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.900",
            "ruff>=0.1.0",
        ],
        "test": [
            "pytest>=6.0",
            "pytest-cov>=2.0",
            "pytest-mock>=3.0",
        ],
    }

# Core dependencies required on all platforms
install_requires = [
    "click>=8.0.0",  # CLI framework
] + get_platform_dependencies()

setup(
    name="ignoretouchpad",
    version="0.1.0",
    author="IgnoreTouchpad Development Team",
    description="Enable or disable pointing devices and remember the choice",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Hardware :: Hardware Drivers",
        "Topic :: Utilities",
    ],
    keywords="touchpad mouse input device udev xinput",
    python_requires=">=3.8",
    install_requires=install_requires,
    extras_require=get_extras(),
    entry_points={
        "console_scripts": [
            "ignoretouchpad=ignoretouchpad.cli:main",
        ],
    },
    zip_safe=False,
)
