"""HTTP routers; each module owns one ``/api/<area>`` prefix."""
