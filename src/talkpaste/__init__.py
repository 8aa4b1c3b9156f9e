# TalkPaste - Click-to-Talk Speech-to-Text

"""
Desktop dictation tool: record a short clip, transcribe it with an
on-device model or a cloud API, and paste the text into the focused app.
"""

__version__ = "0.1.0"
__app_name__ = "TalkPaste"
