from setuptools import setup, find_packages

setup(
    name='claude-folder-uploader',
    version='0.1.0',
    description='Upload every supported file in a folder to a Claude.ai project from a copied cURL request',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*']),
    include_package_data=True,
    install_requires=[
        'click',
        'requests',
        'curl_cffi>=0.7',
        'tqdm',
        'tzlocal',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'claude-folder-uploader=claude_folder_uploader.cli:main',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent'
    ],
    python_requires='>=3.8',
)
