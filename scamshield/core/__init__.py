"""
Core Modules
=============
Contains the interaction logic of the ScamShield front-end:
- classifier.py   - raw input → wallet / handle / none
- verdict.py      - phase state machine around the verdict request
- recovery.py     - concurrent recovery kit fetch + recovery checklist
- conversation.py - AI assistant chat with word-by-word reply reveal
- observable.py   - subscriber/notify base shared by the stateful parts
"""
