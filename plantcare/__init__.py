"""
PlantCare AI
Live plant disease scanning, AI diagnosis and a crop assistant API.
"""

__version__ = '1.0.0'


def create_app(config_name=None):
    from plantcare.app import create_app as _create_app
    return _create_app(config_name)


__all__ = ['create_app', '__version__']
