
# The MIT License

# Copyright (c) 2012 ObjectLabs Corporation

# Permission is hereby granted, free of charge, to any person obtaining
# a copy of this software and associated documentation files (the
# "Software"), to deal in the Software without restriction, including
# without limitation the rights to use, copy, modify, merge, publish,
# distribute, sublicense, and/or sell copies of the Software, and to
# permit persons to whom the Software is furnished to do so, subject to
# the following conditions:

# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.

# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
# MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND
# NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE
# LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION

###############################################################################
# Imports
###############################################################################
from setuptools import setup

###############################################################################
# Setup
###############################################################################
setup(
    name='mongotm',
    version='0.1.0',
    author='MongoLab team',
    author_email='team@mongolab.com',
    description='MongoDB test topology manager',
    long_description="mongotm starts throw-away MongoDB replica sets and"
                     " sharded clusters on the local machine so that drivers"
                     " and applications can be tested against elections,"
                     " reconfigurations and shard routing.",
    packages=['mongotm',
              'mongotm.objects',
              'mongotm.commands',
              'mongotm.commands.topology',
              'mongotm.commands.misc',
              'mongotm.tests'],
    test_suite="mongotm.tests.test_suite",
    include_package_data=True,
    scripts=['bin/mongotm'],
    license='MIT',
    python_requires='>=3.8',
    install_requires=[
        'pymongo>=4.0'],
    extras_require={
        'test': ['pytest']}
)
