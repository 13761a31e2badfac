from webradio.models.genre import Genre
from webradio.models.station import AdType, Station
from webradio.models.player_app import PlayerApp
from webradio.models.export_profile import ExportProfile

__all__ = [
    "Genre",
    "Station", "AdType",
    "PlayerApp",
    "ExportProfile",
]
