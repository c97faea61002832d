#!/usr/bin/env python

from setuptools import setup

setup(
    name='termreplay',
    version='0.1.0',
    license='BSD 3-clause license',
    description='Replay scripted terminal interactions as animations',
    long_description='Replays a script of terminal interactions (typing, '
                     'running commands, copy and paste...) against a simulated '
                     'terminal and records the result as a GIF animation, an '
                     'SVG animation or an asciicast recording.',
    classifiers=[
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Operating System :: MacOS',
        'Operating System :: POSIX :: BSD',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Topic :: Documentation',
        'Topic :: Terminals'
    ],
    python_requires='>=3.8',
    packages=[
        'termreplay',
        'termreplay.tests'
    ],
    scripts=['scripts/termreplay'],
    include_package_data=True,
    install_requires=[
        'lxml',
        'Pillow',
        'pyte',
        'wcwidth',
    ],
    extras_require={
        'dev': [
            'coverage',
            'pylint',
            'twine',
            'wheel',
        ]
    }
)
