"""BOM enricher: LCSC/JLCPCB pricing and stock lookup for design-tool BOMs."""

__version__ = "0.1.0"
