"""NSV road-condition survey ingestion.

Decodes network survey vehicle (NSV) workbooks into lane measurements, classifies
distress severity against threshold profiles and persists highways, segments,
lanes and alerts.
"""

__version__ = "0.1.0"
