import os
from setuptools import setup, find_namespace_packages
from setuptools.command.build_py import build_py as _build

CLASSIFIERS = [
    'Operating System :: POSIX',
    'Operating System :: MacOS :: MacOS X',
    'Intended Audience :: Developers',
    'Programming Language :: Python',
    'Programming Language :: Python :: 3',
    'Topic :: Internet :: WWW/HTTP :: WSGI'
]

pkgdir = os.path.dirname(os.path.abspath(__file__))
srcdir = os.path.join(pkgdir, 'python')

def get_version():
    out = "dev"
    versfile = os.path.join(pkgdir, 'VERSION')
    if os.path.exists(versfile):
        with open(versfile) as fd:
            parts = fd.readline().split()
        if len(parts) > 0:
            out = parts[-1]
    else:
        out = "(unknown)"
    return out

def write_version_mod(version, builddir):
    rescoredir = os.path.join(builddir, 'rescore')
    if not os.path.isdir(rescoredir):
        return
    for pkg in [f for f in os.listdir(rescoredir) \
                  if not f.startswith('_') and not f.startswith('.')
                     and os.path.isdir(os.path.join(rescoredir, f))]:
        print("setting version for rescore."+pkg)
        versmodf = os.path.join(rescoredir, pkg, "version.py")
        with open(versmodf, 'w') as fd:
            fd.write('"""')
            fd.write("""
An identification of the subsystem version.  Note that this module file gets
(over-) written by the build process.
""")
            fd.write('"""\n\n')
            fd.write('__version__ = "')
            fd.write(version)
            fd.write('"\n')

class build(_build):

    def run(self):
        _build.run(self)
        write_version_mod(get_version(), self.build_lib)

setup(name='rescore',
      version=get_version(),
      description="rescore: decorator chains for composing REST resources",
      python_requires='>=3.7',
      package_dir={'': 'python'},
      packages=find_namespace_packages(where='python', include=['rescore', 'rescore.*']),
      install_requires=[
          'PyYAML',
          'jsonpatch'
      ],
      extras_require={
          'test': [ 'pytest' ]
      },
      cmdclass={'build_py': build},
      classifiers=CLASSIFIERS,
      zip_safe=False
)
