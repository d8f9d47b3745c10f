"""
All the data structures exchanged with the API servers or between the layers.

All the modules are purely data-manipulative and computational.
No external calls or any i/o activities are done here.
"""
