"""Fleet app package.

This app holds the reservable catalog: dahabiya vessels with their cabins
and fixed-departure packages. The catalog is maintained through the admin
and is read-only to the booking core.
"""
