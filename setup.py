from setuptools import find_packages, setup

extras_require = {
    "test": ["pytest", "hist"],
    "hist": ["hist"],
}

extras_require["complete"] = sorted(set(sum(extras_require.values(), [])))

setup(
    name="gridhist",
    version="0.3.0",
    description="Fill regular N-dimensional histograms and store them in HDF5.",
    package_dir={"": "src"},
    packages=find_packages(where="src", include=["gridhist", "gridhist.*"]),
    python_requires=">=3.8",
    install_requires=[
        "boost-histogram>=1.0",
        "dask[array]>=2021.03.0",
        "h5py>=3.0",
        "numpy>=1.18",
    ],
    extras_require=extras_require,
    entry_points={
        "dask.sizeof": ["gridhist = gridhist.sizeof:register"],
    },
)
