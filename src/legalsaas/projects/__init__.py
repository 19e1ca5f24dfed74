"""Projects module -- legal matters tracked on a kanban board, with portfolio stats."""
