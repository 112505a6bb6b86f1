"""
Streamlit layer of the labeling app
"""
