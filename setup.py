"""
Packaging for midiconnect. The tests sit beside the modules as *_test.py and run with pytest:

    pip install -e .[test]
    pytest src
"""

from setuptools import setup

setup(
    name='midiconnect-py',
    version='0.0.1',
    description='MIDI 1.0 and Universal MIDI Packet decoding, with automatic connection to MIDI sources.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['midiconnect', 'midiconnect.config', 'midiconnect.protocol', 'midiconnect.support',
              'midiconnect.transport'],
    package_data={
        'midiconnect': ['*.cfg'],
        'midiconnect.config': ['*.cfg'],
    },
    python_requires='>=3.8',
    install_requires=[
        'configobj>=5.0.9',
        'mido>=1.3',
    ],
    extras_require={
        'test': ['pytest', 'PyHamcrest>=2.0', 'timeout-decorator'],
        'rtmidi': ['python-rtmidi'],
    },
    entry_points={
        'console_scripts': ['midiconnect=midiconnect.cli:main'],
    },
    zip_safe=False,
)
