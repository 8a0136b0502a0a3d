"""
Sensor bus drivers.
Each driver exposes a `read()` method returning (temperature in Celsius, relative humidity)
and raising on a failed bus transaction.
"""
