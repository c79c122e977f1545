"""
profilesync – Mirror personal activity from third-party services.

Supports:
  • Instagram feed → JSON + downloaded photos
  • VSCO profile → JSON + downloaded images
  • NeoDB shelves → merged catalog, per-category files, cover images
  • Last.fm recent tracks, Hitokoto quotes, WakaTime stats → Gist files
  • KMZ footprints map → GeoJSON
"""
