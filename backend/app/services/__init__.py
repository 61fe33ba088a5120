# Services package init
"""
Inkwell Backend — Services Layer
==================================

Service Inventory:
    - SessionRegistry: channel → live sessions table; join/leave/deliver
    - MessageStore (abstract) / SqlAlchemyMessageStore: save and history
    - MessageRelay: validate → timestamp → save → deliver; history queries

Services are transport-agnostic: the same relay serves the chat socket and
the REST endpoints, and can be tested without either.
"""
