from setuptools import setup

setup(
    name="pgmfactor",
    version="0.1.0",
    author="Maxwell Forbes",
    author_email="mbforbes@gmail.com",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.10",
    ],
    keywords="factor discrete factor product marginalization graphical model",
    packages=["pgmfactor"],
    url="https://github.com/mbforbes/py-factorgraph/",
    license="MIT",
    description="Dense discrete factors and their algebra for graphical model inference.",
    install_requires=[
        "numpy >= 1.13.0",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
)
