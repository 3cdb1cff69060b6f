from setuptools import setup, find_packages

setup(
    name='regls',
    version='0.5',
    packages=find_packages('src'),
    package_dir={'': 'src'},
    python_requires='>=3.9',
    install_requires=[
        'numpy',
        'scipy',
        'pandas',
        'matplotlib',
        'scikit-learn'
    ],
    extras_require={
        'test': ['pytest'],
    },
    description='Regularized least squares (lasso, ridge, elastic net) with ADMM, CCD and SVD solvers and cross-validation.',
)
