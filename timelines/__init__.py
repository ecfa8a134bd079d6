"""
Daily timeline pipeline for cotwit.

Turns three independently published series (confirmed cases, recoveries,
deaths) into one date-aligned dataset, then renders and publishes it:
  - records:  delimited text -> raw rows
  - series:   raw rows -> cumulative timeline
  - align:    common date window across all series
  - dataset:  orchestration into one immutable Dataset
  - render:   radial stacked-bar chart and caption
  - publish:  file / HTTP publishers
"""

__version__ = "0.1.0"
