from setuptools import setup

SRC_DIR = "pingsweep"
PACKAGES = [SRC_DIR]

with open("README.rst", "r") as fh:
    long_description = fh.read()

setup(
    name                ='pingsweep',
    version             ='1.0.0',
    description         ='A bounded-concurrency ping sweeper for IPv4 subnets',
    long_description    =long_description,
    long_description_content_type="text/x-rst",
    python_requires     ='>=3.9, <4',
    license             ='MIT License',
    packages            =PACKAGES,
    install_requires    =['multiping'],
    extras_require      ={'test': ['pytest']},
    entry_points        ={'console_scripts': ['pingsweep = pingsweep.cli:run']},
    classifiers         =[
        'Programming Language :: Python',
        'Natural Language :: English',
        'Environment :: Console',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX :: Linux',
        'Topic :: System :: Monitoring',
        'Topic :: System :: Networking',
    ]
)
