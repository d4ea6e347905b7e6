"""
Setup configuration for Memory LLM package.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

# Read requirements from requirements.txt
requirements = []
try:
    with open(this_directory / "requirements.txt") as f:
        requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]
except FileNotFoundError:
    pass

setup(
    name="memory-llm",
    version="0.1.0",
    author="Memory Engine Team",
    author_email="contact@memory-engine.dev",
    description="LLM provider resolution, retries, token budgets and rolling summaries for conversational memory",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/memory-engine/memory-llm",
    packages=find_packages(include=["memory_llm", "memory_llm.*"]),
    py_modules=["memory_llm_cli"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "pytest-asyncio>=0.21.0",
            "python-dotenv>=1.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "memory-llm=memory_llm_cli:run",
        ],
    },
    project_urls={
        "Bug Reports": "https://github.com/memory-engine/memory-llm/issues",
        "Source": "https://github.com/memory-engine/memory-llm",
    },
    keywords="llm openai anthropic azure retry token-counting summarization embeddings memory",
)
