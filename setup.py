# -*- coding: utf-8 -*-
import os
import re
from setuptools import setup

here = os.path.dirname(os.path.abspath(__file__))
with open(os.path.join(here, 'vow', '__init__.py')) as f:
    VERSION = re.search(r'^VERSION = "([^"]+)"', f.read(), re.M).group(1)

install_requires = ['tornado>=6.0', 'Twisted>=22.1']

setup(name="vow",
      version=VERSION,
      description="Settle-once promises with deferred dispatch over pluggable event loops",
      packages=['vow',
                'vow.stack',
                'vow.queue_stack',
                'vow.tornado_stack',
                'vow.twisted_stack'],
      install_requires=install_requires,
      extras_require={'test': ['pytest>=7']},
      python_requires='>=3.8',
      license='MIT'
      )
