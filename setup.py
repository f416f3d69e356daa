"""Setup configuration for crack-password-pool."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

setup(
    name="crack-password-pool",
    version="1.0.0",
    description="Bounded concurrent password-candidate dispatcher with resumable progress",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Light",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        # HTTP transport
        "requests>=2.31.0",
        # Configuration & Data Formats
        "PyYAML>=6.0",
        "python-dotenv>=1.0.0",
        # Logging & Monitoring
        "colorlog>=6.7.0",
        # Performance
        "psutil>=5.9.0",
        # Data Validation
        "pydantic>=2.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-timeout>=2.1.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.5.0",
        ],
        "test": [
            "pytest>=7.4.0",
            "pytest-timeout>=2.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "crack-password-pool=crack_password_pool.pipeline.runner:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: POSIX",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    keywords="password dictionary concurrency thread-pool share-link",
)
