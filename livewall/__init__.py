"""
Backend package for the live photo wall.

Visitors submit a photo and/or a message, moderators approve, reject or
schedule submissions, and approved items are shown on the public wall.
Photographer and admin accounts are managed alongside.
"""
