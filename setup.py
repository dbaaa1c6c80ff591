"""Setup script for liveness-core."""

from pathlib import Path

from setuptools import setup, find_packages

with open(Path(__file__).parent / "requirements.txt") as f:
    required = [line.strip() for line in f if line.strip() and not line.startswith("#")]

setup(
    name="liveness-core",
    version="1.0.0",
    description="Single-image face liveness detection with occlusion and image quality gates",
    author="Team Converge",
    packages=find_packages(include=["liveness_core", "liveness_core.*"]),
    python_requires=">=3.8",
    install_requires=required,
    extras_require={
        "test": ["pytest>=7"],
    },
    package_data={"liveness_core": ["config.yaml"]},
    entry_points={
        "console_scripts": [
            "liveness-detect=liveness_core.cli:main",
        ],
    },
    include_package_data=True,
)
