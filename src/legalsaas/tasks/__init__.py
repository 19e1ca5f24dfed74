"""Tasks module -- task board, subtasks, and completion statistics."""
