"""Lesson modules live here.

Each module defines Prefect tasks and at least one flow decorated with
`@flowtour.lesson(name=..., params=...)`. The CLI imports every module in this
package and collects the decorated flows.

Keep lessons independent per file; shared helpers belong in `flowtour`.
"""
