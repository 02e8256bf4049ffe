"""
Setup script for ascension-scheduler.

Ascension is the scheduling core of an adaptive test-prep trainer. It
answers three questions for every learner:

1. What next - priority scoring and daily block plans
2. How hard - ELO ratings, mastery gates and spaced review
3. How long - per-question time budgets, drift and abandonment analysis

The package has no CLI or storage of its own; host applications own
persistence and the clock.
"""

from setuptools import find_packages, setup

setup(
    name="ascension-scheduler",
    version="1.0.0",
    description="Adaptive training scheduler: ratings, mastery gates, spaced review and pacing",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Ascension",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition elo scheduling education",
)
