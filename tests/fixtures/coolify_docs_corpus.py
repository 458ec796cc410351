"""Miniature llms-full.txt bundle used by parser, index and engine tests.

Three pages in the exact bundle format: front matter, an H1 introduction and
``##`` sections, separated by a blank line between two ``---`` rules.
"""

SAMPLE_DOCS = """---
url: /docs/get-started/installation.md
description: >-
  Install Coolify self-hosted PaaS on Linux servers with automated Docker setup
  script and SSH access.
---

# Installation

Coolify can be installed on any Linux server.

## Requirements

You need a server with at least 2GB RAM and 2 CPU cores.
SSH access is required for the installation process.

## Quick Install

Run the following command to install Coolify:

```bash
curl -fsSL https://cdn.coolify.io/install.sh | bash
```

---

---
url: /docs/applications/docker-compose.md
description: >-
  Deploy Docker Compose applications on Coolify with environment variables,
  build packs, and custom domains.
---

# Docker Compose

You can deploy any Docker Compose based application with Coolify.

## Environment Variables

Define environment variables in your docker-compose.yml or through the Coolify UI.
Variables defined in the UI take precedence over those in the compose file.

## Custom Domains

Set custom domains for your Docker Compose services through the Coolify dashboard.
Each service can have its own domain configuration.

---

---
url: /docs/troubleshoot/applications/502-error.md
description: >-
  Fix 502 Bad Gateway errors in Coolify applications caused by health check
  failures, port mismatches, and proxy configuration issues.
---

# 502 Bad Gateway Error

A 502 error usually means your application is not responding to the reverse proxy.

## Common Causes

Check the following:
- Your application is listening on the correct port
- Health checks are configured properly
- The container is actually running

## Port Configuration

Make sure your application listens on the port specified in the Coolify settings.
The default exposed port is 3000 for most build packs."""

# Chunks produced from SAMPLE_DOCS, in emission order
SAMPLE_CHUNK_TITLES = [
    "Installation",
    "Installation > Requirements",
    "Installation > Quick Install",
    "Docker Compose",
    "Docker Compose > Environment Variables",
    "Docker Compose > Custom Domains",
    "502 Bad Gateway Error",
    "502 Bad Gateway Error > Common Causes",
    "502 Bad Gateway Error > Port Configuration",
]
