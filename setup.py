from setuptools import setup, find_packages
about = {}
with open("pybindump/__about__.py") as fp:
    exec(fp.read(), about)

setup(name=about["__title__"],
      version=about["__version__"],
      description=about["__summary__"],
      packages=find_packages(exclude=["tests"]),
      python_requires='>=3.6',
      install_requires=[],
      extras_require={"test": ["pytest"]}
      )
