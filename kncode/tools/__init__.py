"""Agent tools: file access, glob and grep search, shell, web fetching, todos and a registry."""