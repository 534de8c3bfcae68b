from setuptools import setup, find_packages

setup(
    name="cast-ssh",
    version="1.0.0",
    license="MIT Licence",
    description="run one command on many hosts over ssh, in parallel",
    long_description="",
    python_requires=">=3.8",
    install_requires=[
        "ssh2-python",
        "gevent",
        "paramiko>=3.2",
    ],
    extras_require={
        "test": ["pytest"],
    },
    packages=find_packages(exclude=["tests", "tests.*"]),
    entry_points={
        "console_scripts": [
            'castssh = castlib.cli:main'
        ]
    },
    scripts=["bin/castssh.py"],
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
    ],
)
