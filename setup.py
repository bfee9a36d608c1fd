#!/usr/bin/env python
from setuptools import setup
import os


def get_version():
    curdir = os.path.dirname(__file__)
    filename = os.path.join(curdir, 'src', 'svg2png', 'version.py')
    with open(filename, 'rb') as fp:
        return fp.read().decode('utf8').split('=')[1].strip(" \n'")


def readme():
    with open('README.rst') as f:
        return f.read()


setup(
    name='svg2png',
    version=get_version(),
    description='Render SVG scene descriptors to PNG images',
    long_description=readme(),
    classifiers=[
        'Development Status :: 3 - Alpha',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Multimedia :: Graphics',
        'Topic :: Multimedia :: Graphics :: Graphics Conversion',
    ],
    keywords='svg png rasterizer',
    license='MIT License',
    package_dir={'': 'src'},
    packages=[
        'svg2png',
        'svg2png.rasterizer',
    ],
    python_requires='>=3.10',
    install_requires=[
        'pillow',
        'numpy',
    ],
    extras_require={
        'resvg': [
            'resvg-py'],
        'test': [
            'pytest'],
    },
    include_package_data=True,
    entry_points={
        'console_scripts': ['svg2png=svg2png.__main__:main']
    },
    )
