import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="colornet",
    version="1.0.0",
    description="colornet - recurrently altered, colorful subnetworks of gene interaction networks",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.8',
    install_requires=[
        'pandas>=1.0.1',
        'numpy>=1.18.1',
        'networkx>=2.3',
        'matplotlib>=3.1.0',
        'scipy>=1.9.0',
        'gseapy>=0.9.15',
        'seaborn>=0.9.0',
        'mygene>=3.1.0',
        'tqdm>=4.0'
    ],
    extras_require={
        'test': ['pytest>=6.0'],
    },
    entry_points={
        'console_scripts': ['colornet=colornet.cli:main'],
    },
)
