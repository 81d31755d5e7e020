from setuptools import find_packages, setup

setup(
    name="modpack",
    version="0.1.0",
    description="Module assembly and include resolution plugin for vert.x style module projects",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={"modpack": ["schemas/*.json"]},
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0",
        # descriptor validation
        "jsonschema>=4.0.0",
        "prometheus-client>=0.17",
        # remote module repositories
        "requests>=2.28",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "modpack=modpack.cli:main",
        ],
    },
)
