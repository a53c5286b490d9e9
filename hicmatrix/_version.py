__version__ = '0.3.0'
__format__ = 'HDF5::HICMATRIX'
__format_version__ = 1
