"""
binfetch - resolve repository release URLs into installable binaries.
"""
