"""
PrintDesk — recommendation engine for a 3D-printing service desk.

Free-text project description in, priced print plan out:
material → printer → print settings → cost, each with reasoning.
"""
