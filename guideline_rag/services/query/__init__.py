"""
Guideline question answering

Answers underwriting questions against every active guideline file in a
single generation call and records the exchange in chat history.
"""
