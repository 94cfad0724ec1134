from setuptools import setup, find_packages

package_name = 'haptic_hands'

setup(
    name=package_name,
    version='1.0.0',
    packages=find_packages(exclude=['test']),
    install_requires=[
        'setuptools',
        'numpy>=1.24',
        'scipy>=1.10',
        'fastapi>=0.104.0',
        'uvicorn>=0.24.0',
    ],
    extras_require={
        'test': [
            'pytest',
            'httpx',
        ],
    },
    python_requires='>=3.8',
    zip_safe=True,
    description='Phone-driven virtual hands gateway with haptic feedback over UDP',
    license='MIT',
    entry_points={
        'console_scripts': [
            'haptic-hands = haptic_hands.main:main',
        ],
    },
)
