#!/usr/bin/env python
# -*- coding: utf-8 -*-
import io
import os
import re

from setuptools import setup, find_packages


classifiers = """\
    Development Status :: 4 - Beta
    Operating System :: OS Independent
    Programming Language :: Python
    Programming Language :: Python :: 3
    Programming Language :: Python :: 3.8
    Programming Language :: Python :: 3.9
    Programming Language :: Python :: 3.10
    Programming Language :: Python :: 3.11
    Programming Language :: Python :: 3.12
"""


def _read(*parts, **kwargs):
    filepath = os.path.join(os.path.dirname(__file__), *parts)
    encoding = kwargs.pop('encoding', 'utf-8')
    with io.open(filepath, encoding=encoding) as fh:
        text = fh.read()
    return text


def get_version():
    version = re.search(
        r'^__version__\s*=\s*[\'"]([^\'"]*)[\'"]',
        _read('hicmatrix', '_version.py'),
        re.MULTILINE).group(1)
    return version


def get_long_description():
    return _read('README.md')


install_requires = [
    'numpy>=1.20',
    'scipy>=1.5',
    'pandas>=1.4',
    'h5py>=3.0',
    'click>=7.0',
    'cytoolz',
    'simplejson',
]


tests_require = [
    'pytest',
]


extras_require = {
    'test': tests_require,
}


setup(
    name='hicmatrix',
    version=get_version(),
    license='BSD',
    description='Multi-resolution Hi-C contact matrices in HDF5: storage, '
                'range queries, zooming and balancing',
    long_description=get_long_description(),
    long_description_content_type='text/markdown',
    keywords=['genomics', 'bioinformatics', 'Hi-C', 'contact', 'matrix',
              'scaffolding', 'hdf5'],
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.8',
    zip_safe=False,
    classifiers=[s.strip() for s in classifiers.split('\n') if s],
    install_requires=install_requires,
    tests_require=tests_require,
    extras_require=extras_require,
    entry_points={
        'console_scripts': [
            'hicmatrix = hicmatrix.cli:cli',
        ]
    }
)
