from setuptools import setup, find_packages

setup(
    name="jax_lv_benchmark",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*", "examples", "examples.*"]),
    install_requires=[
        "jax",
        "jaxlib",
        "numpy",
        "blackjax",
        "diffrax",
        "numpyro",
        "cmdstanpy",
        "h5py",
        "matplotlib",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
