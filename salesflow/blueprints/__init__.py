"""
HTTP blueprints. Each subpackage exposes one Blueprint; the routes translate
requests into an Actor plus payload and hand them to the lifecycle modules.
"""
