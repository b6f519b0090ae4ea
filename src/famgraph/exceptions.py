"""
Exceptions raised across famgraph
"""


class FamGraphError(Exception):
    """Base exception for famgraph errors"""
    pass

class LayoutError(FamGraphError):
    """Raised when the layout engine cannot position the graph"""
    pass

class GedcomImportError(FamGraphError):
    """Raised when a GEDCOM document cannot be read or decoded"""
    pass

class GedcomExportError(FamGraphError):
    """Raised when a GEDCOM document cannot be written"""
    pass

class KnowledgeBaseError(FamGraphError):
    """Raised when the external person lookup service rejects a request"""
    pass
