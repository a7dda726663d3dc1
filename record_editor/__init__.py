"""Schema-driven record editor: schema model, record engine, persistence and Streamlit views."""
