from setuptools import find_packages, setup

setup(
    name='clipbot',
    version='0.1',
    packages=find_packages(exclude=['tests']),
    python_requires='>=3.9',
    install_requires=[
        'python-telegram-bot>=21.0',
        'python-dotenv',
        'requests'
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio'
        ],
    },
    entry_points={
        'console_scripts': [
            'clipbot=clipbot.bot:main',
            'clipbot-convert=clipbot.local:main',
        ],
    },
)
