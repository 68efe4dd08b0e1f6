from setuptools import setup, find_packages

setup(
    name='binfetch',
    version='0.1.0',
    description='Download the release binary that fits this platform from GitHub or GitLab',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.8',
    install_requires=[
        'requests',
        'urllib3',
        'rich',
        'platformdirs',
        'PyYAML',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'binfetch=binfetch.cli:main',
        ],
    },
)
