"""Package setup for nodeport_router."""

from setuptools import setup, find_packages

setup(
    name="nodeport-router",
    version="1.0.0",
    description="Mirror Kubernetes NodePort services as port forwards on an Arris NVG443B router",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.31.0",
        "beautifulsoup4>=4.12.0",
        "lxml>=5.0.0",
        "urllib3>=2.0.0",
        "colorlog>=6.8.0",
        "kubernetes>=29.0.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "nodeport-router=nodeport_router.cli:main",
        ],
    },
)
