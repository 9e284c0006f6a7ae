from setuptools import find_packages, setup

setup(
    name="facet-shell",
    version="0.1.0",
    description="Flat-facet T3/Q4 shell finite elements with SRI and projected-normal stabilization",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "scipy",
        "PyYAML",
        "meshio",
    ],
    extras_require={
        "petsc": ["petsc4py", "mpi4py"],
        "test": ["pytest"],
    },
)
