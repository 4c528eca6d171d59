from setuptools import find_packages, setup

with open("README.md") as f:
    long_description = f.read()

setup(
    name="modeinterp",
    version="0.1.0",
    description="Symmetry-aware, mode-matching interpolation of per-mode data on meshes",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Intended Audience :: Education",
        "Intended Audience :: Developers",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Physics",
    ],
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.10",
    install_requires=["numpy", "scipy>=1.4", "typing_extensions; python_version<'3.12'"],
    extras_require={"test": ["pytest"]},
)
