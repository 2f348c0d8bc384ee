import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

with open('VERSION', 'r') as fh:
    VERSION = fh.read().strip()

setuptools.setup(
    name="archprovision",
    version=VERSION,
    description="Arch Linux provisioner - disk layout, base install and chroot setup",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_namespace_packages(include=['archprovision', 'archprovision.*']),
    classifiers=[
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires='>=3.12',
    install_requires=[
        'pydantic>=2.0',
    ],
    extras_require={
        'test': ['pytest'],
        'journald': ['systemd-python'],
    },
    entry_points={
        'console_scripts': [
            'archprovision=archprovision:run_as_a_module',
        ],
    },
)
