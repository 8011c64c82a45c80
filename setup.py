from setuptools import setup, find_packages
from pathlib import Path

package_name = 'workload-operator'
description = (
    'A Kubernetes Operator that caches the objects of a namespace and '
    'decides how the pods of workload members have to be rotated.'
)
author = 'Association of Universities for Research in Astronomy'
author_email = 'sqre-admin@lists.lsst.org'
license = 'MIT'
url = 'https://github.com/lsst-sqre/workload-operator'
pypi_classifiers = [
    'Development Status :: 4 - Beta',
    'License :: OSI Approved :: MIT License',
    'Programming Language :: Python :: 3.11'
]
keywords = ['lsst', 'kubernetes', 'operator']
readme = Path(__file__).parent / 'README.rst'

# Core dependencies
install_requires = [
    'kopf>=1.37',
    'kubernetes>=29.0.0',
    'structlog>=24.1.0',
]

# Test dependencies
tests_require = [
    'pytest>=8.0',
    'pyyaml>=6.0',
]

# Optional dependencies (like for dev)
extras_require = {
    'tests': tests_require,
    # For development environments
    'dev': tests_require,
}

# Setup-time dependencies
setup_requires = [
    'setuptools_scm',
]

setup(
    name=package_name,
    description=description,
    long_description=readme.read_text(),
    author=author,
    author_email=author_email,
    url=url,
    license=license,
    classifiers=pypi_classifiers,
    keywords=keywords,
    package_dir={'': 'src'},
    packages=find_packages('src', exclude=['docs', 'tests']),
    python_requires='>=3.11',
    install_requires=install_requires,
    setup_requires=setup_requires,
    extras_require=extras_require,
    use_scm_version={'fallback_version': '0.1.0'},
    include_package_data=True
)
