from setuptools import setup, find_packages

setup(
    name='osctrack_sdk_python',
    version='0.1.0',
    packages=find_packages(include=['osctrack_sdk_python', 'osctrack_sdk_python.*']),
    python_requires='>=3.8',
    install_requires=[
        'numpy',
        'scipy',
        'python-osc',
        'zeroconf',
        'httpx',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
