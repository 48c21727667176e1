"""
pyqt-logconsole: debug console log viewer for PyQt6.

Classifies raw debug output into leveled records, keeps a bounded and
persisted store, filters it by level and text, and renders the result in a
variable-height virtualized view that stays responsive with tens of
thousands of records.

Architecture:
- models / parsing: records, level classification, group level inheritance
- services: store, filter engine, query tool, session tracking, view controller
- viewport: visible-window bookkeeping independent of Qt widgets
- rendering / theming: record markup and colors
- widgets: the Qt scroll view and console window
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
