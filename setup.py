from setuptools import setup, find_packages

setup(
    name="homofit",
    version="1.0.0",
    description="Planar homography estimation with a Nelder-Mead simplex search",
    author="homofit contributors",
    packages=find_packages(include=["homofit", "homofit.*"]),
    install_requires=[
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.9",
)
