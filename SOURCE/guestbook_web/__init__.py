"""
Guestbook web frontend: backend client, screen controllers and the Streamlit app.
"""
