from setuptools import setup, find_packages

setup(name='lptlib',
      version='0.1',
      description='Low-precision graph transformations for quantised networks',
      author='Matteo Spallanzani',
      author_email='spmatteo@iis.ee.ethz.ch',
      packages=find_packages(include=['lptlib', 'lptlib.*']),
      install_requires=[
          'torch',
          'networkx',
          'graphviz',
      ],
      extras_require={
          'test': ['pytest'],
      },
     )
