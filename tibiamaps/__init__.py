"""Convert the client's Automap tile files to floor rasters + markers, and back."""

__version__ = '1.0.0'
