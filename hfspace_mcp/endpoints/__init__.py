"""
Endpoint layer: path resolution, schema conversion, progress,
content conversion, and the EndpointWrapper that ties them together.
"""
