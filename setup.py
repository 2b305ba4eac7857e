import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="rkgrid",
    version="0.1.0",
    description="Embedded Runge-Kutta integration on a grid of output times",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(include=["rkgrid", "rkgrid.*"]),
    install_requires=[
        "numpy>=1.22.0",
        "scipy>=1.8.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    keywords=[
        'ode', 'ode-solver', 'ivp', 'runge-kutta', 'differential-equations',
        'dormand-prince', 'cash-karp', 'fehlberg', 'bogacki-shampine',
        'dense-output', 'neville', 'interpolation'
    ],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering",
        "Topic :: Scientific/Engineering :: Mathematics",
    ],
    python_requires='>=3.8',
    tests_require=['pytest']
)
