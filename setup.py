# setup.py
from setuptools import setup, find_packages

setup(
    name="site_harvest",
    version="0.1.0",
    description="Асинхронный краулер SiteHarvest: обнаружение страниц сайта и извлечение контента",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"site_harvest.report": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "playwright>=1.40",
        "beautifulsoup4>=4.12",
        "lxml>=5.0",
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
        "console_scripts": [
            "site-harvest=site_harvest.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
