"""
File handles for Exodus II files.

Open files with :py:meth:`ExodusReader.open`, create them with :py:meth:`ExodusWriter.create` and
extend them with :py:meth:`ExodusAppender.append`.
"""
from .modes import ExodusAppender, ExodusReader, ExodusWriter

__all__ = ["ExodusReader", "ExodusWriter", "ExodusAppender"]
