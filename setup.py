"""Install the appraiser accounts package."""

from setuptools import setup, find_packages

setup(
    name='appraiser-users',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    install_requires=[
        "pydantic>=2",
        "supabase>=2",
        "redis",
        "fakeredis",
        "requests",
        "flask",
        "click",
        "pytz",
        "python-dateutil",
        "python-json-logger",
    ],
    extras_require={
        'test': [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        'console_scripts': [
            'appraiser-users=appraiser.users.cli:cli',
        ],
    },
    zip_safe=False
)
