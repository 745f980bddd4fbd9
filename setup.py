from setuptools import setup, find_packages


def readme():
    with open('README.md') as f:
        return f.read()


setup(
    name='macpp',
    version='0.0',
    description=('Bayesian inference for marked ancestor and descendant '
                 'point patterns'),
    long_description=readme(),
    long_description_content_type='text/markdown',
    license='Apache 2.0',
    packages=find_packages(exclude=['tests']),
    python_requires='>=3.9',
    install_requires=[
        'numpy',
        'scipy',
        'pandas',
        'scikit-learn',
        'shapely>=2.0',
        'tqdm',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
