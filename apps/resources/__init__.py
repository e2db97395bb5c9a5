"""Resources app package.

Bookable inventory offered by vendors: hotel room types, rental cars,
tour departures and transfer vehicles, each with its own rate table.
"""
