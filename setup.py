import setuptools

setuptools.setup(
    name='admat',
    version='0.1.0',
    description=(
        'Validated matrix checks and a differentiable matrix exponential'
    ),
    long_description=(
        'admat is a Python package providing checks of the structural and '
        'numeric preconditions of matrix arguments (symmetry, positive '
        'definiteness, covariance and correlation matrix validity, finiteness) '
        'with pluggable failure policies, together with a matrix exponential '
        'whose derivatives propagate through a reverse-mode differentiation '
        'tape or through Autograd.'
    ),
    packages=['admat'],
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Topic :: Scientific/Engineering',
        'Intended Audience :: Science/Research',
        'Intended Audience :: Developers'
    ],
    keywords='linear-algebra validation automatic-differentiation matrix-exponential',
    license='MIT',
    install_requires=['numpy>=1.22', 'scipy>=1.9', 'autograd>=1.5'],
    python_requires='>=3.9',
    extras_require={
        'test': ['pytest>=7']
    }
)
