"""Protocol analyzer that frames byte streams and highlights changing fields of data frames."""

__version__ = "0.1.0"