# Services package init
"""
Inkwell Backend — Services Layer
=================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
Why:   Separation of concerns: routes handle HTTP, services handle business rules.
How:   Services take the session and the caller (Actor) explicitly on every
       call, apply business rules, and return ORM objects or raise
       InkwellError subclasses.

Service Inventory:
    - permission_service: Pure effective-role resolution (no I/O)
    - NoteLifecycleService: Trash, restore, purge, expiry sweep, folder/star writes
    - NoteService: Create, read, update, list and share notes
    - FolderService: Personal and team folders with derived counts
    - TeamService: Teams, member roles, membership lookup
    - ActivityService: Team activity feed
    - TrashSweeper: Periodic background expiry sweep
"""
