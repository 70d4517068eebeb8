# setup.py
from setuptools import setup, find_packages

setup(
    name="crawl_planner",
    version="0.1.0",
    description="CrawlPlanner: обнаружение и ранжирование страниц сайта компании для обхода",
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"crawl_planner": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "click>=8.1",
        "Jinja2>=3.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": ["crawl-planner=crawl_planner.cli:cli"],
    },
    python_requires=">=3.11",
)
