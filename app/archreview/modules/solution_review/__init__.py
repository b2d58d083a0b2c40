"""
Solution Review module.

Architects draft a review of a system's architecture section by section,
submit it once every section is filled, and EAO reviewers approve it
(optionally recording concerns). An approved review is activated as the
system's single CURRENT version; the previous one becomes OUTDATED.
"""
