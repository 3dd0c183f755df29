from setuptools import setup, find_packages

setup(
    name="chef-apply",
    version="0.1.0",
    description="Apply chef install and converge actions to remote or local hosts",
    author="",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.8",
    install_requires=[
        "paramiko>=3.4.0",
        "pyyaml>=6.0.1",
        "click>=8.1.7",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "chef-apply=chef_apply.cli:main",
        ],
    },
    include_package_data=True,
)
