"""
Tools Package

LLM-callable tools. Each module registers its tools with ``tools.registry``
when imported:

- web_search_tool: Brave web search (toolset ``web``)
- web_fetch_tool: URL fetch as markdown, text or html (toolset ``web``)
- context7_tool: library search and documentation (toolset ``docs``)
- github_client: repositories, files, code search, issues and PRs (toolset ``github``)
- file_tools: read_file, ls, grep, find_files (toolset ``files``)
- git_tools: git_diff (toolset ``git``)
- time_tool: get_current_time (toolset ``time``)

The modules are imported by model_tools.py, which provides the unified
interface for definitions and dispatch.
"""
