"""Prompt templates for application generation, explanations and fixes."""

from dataclasses import dataclass
from typing import Any

from vibe.providers.models import FrameworkKind, GenerationContext


@dataclass
class PromptTemplate:
    """A template for generating prompts with variable substitution."""

    template: str

    def render(self, **kwargs: Any) -> str:
        """Render the template with the given variables.

        Args:
            **kwargs: Variables to substitute into the template.

        Returns:
            The rendered template string.

        Raises:
            KeyError: If a required variable is missing.
        """
        return self.template.format(**kwargs)


# =============================================================================
# System Prompts
# =============================================================================

SYSTEM_PROMPTS: dict[FrameworkKind, str] = {
    FrameworkKind.REACT: (
        "You are an expert React developer. You create production-ready, well-structured "
        "React applications with TypeScript and modern best practices. Always use functional "
        "components, hooks, and proper TypeScript types. Include proper error handling and "
        "loading states."
    ),
    FrameworkKind.VUE: (
        "You are an expert Vue.js developer. You create production-ready Vue 3 applications "
        "using the Composition API, TypeScript, and modern best practices. Always use script "
        "setup syntax and proper TypeScript types."
    ),
    FrameworkKind.VANILLA: (
        "You are an expert JavaScript developer. You create clean, modern vanilla JavaScript "
        "applications with proper structure and best practices. Focus on performance, "
        "accessibility, and clean code."
    ),
}


# =============================================================================
# Application Templates
# =============================================================================

REACT_APP_TEMPLATE = PromptTemplate(
    """Create a React application with the following specifications:

DESCRIPTION:
{user_description}

PROJECT NAME: {project_name}

TECHNICAL REQUIREMENTS:
- Use React 18+ with functional components and hooks
- Implement proper TypeScript types and interfaces
- Use Tailwind CSS for styling with the existing design system
- Follow React best practices and patterns
- Include proper error boundaries and loading states
- Implement responsive design for mobile/tablet/desktop
- Use React Router v6 for navigation (if multi-page)
- Optimize for performance with React.memo and useMemo where appropriate

EXISTING CONTEXT:
- Dependencies: {dependencies}
- Existing files: {existing_files}{design_system}

FILE STRUCTURE:
Create files with the following structure:
// File: src/App.tsx
[Complete TypeScript React component code]

// File: src/components/ComponentName.tsx
[Component code]

// File: src/types/index.ts
[TypeScript type definitions]

// File: src/hooks/useCustomHook.ts
[Custom hook code]

OUTPUT RULES:
1. Each file must be clearly marked with "// File: [path]"
2. Generate complete, working code - no placeholders or comments like "add your code here"
3. Include all necessary imports
4. Ensure all TypeScript types are properly defined
5. Follow the existing project structure

Generate the complete application now:"""
)

VUE_APP_TEMPLATE = PromptTemplate(
    """Create a Vue 3 application with the following specifications:

DESCRIPTION:
{user_description}

PROJECT NAME: {project_name}

TECHNICAL REQUIREMENTS:
- Use Vue 3 with Composition API and <script setup>
- Implement proper TypeScript support
- Use Tailwind CSS for styling
- Follow Vue.js best practices
- Include proper error handling and loading states
- Implement responsive design
- Use Vue Router 4 for navigation (if needed)
- Use Pinia for state management (if needed)

EXISTING CONTEXT:
- Dependencies: {dependencies}
- Existing files: {existing_files}{design_system}

FILE STRUCTURE:
Create files with the following structure:
// File: src/App.vue
<script setup lang="ts">
// Composition API logic
</script>

<template>
  <!-- Template here -->
</template>

<style scoped>
/* Scoped styles if needed */
</style>

// File: src/components/ComponentName.vue
[Component code]

// File: src/types/index.ts
[TypeScript type definitions]

// File: src/composables/useCustomHook.ts
[Composable code]

OUTPUT RULES:
1. Each file must be clearly marked with "// File: [path]"
2. Generate complete, working code
3. Use <script setup lang="ts"> syntax
4. Include all necessary imports
5. Ensure proper TypeScript types

Generate the complete application now:"""
)

VANILLA_APP_TEMPLATE = PromptTemplate(
    """Create a vanilla JavaScript application with the following specifications:

DESCRIPTION:
{user_description}

PROJECT NAME: {project_name}

TECHNICAL REQUIREMENTS:
- Use modern ES6+ JavaScript features
- Implement a clean, modular structure
- Use CSS with Tailwind classes for styling
- Include proper error handling
- Implement responsive design
- Use semantic HTML5
- Optimize for performance
- Ensure accessibility

EXISTING CONTEXT:
- Dependencies: {dependencies}
- Existing files: {existing_files}{design_system}

FILE STRUCTURE:
Create files with the following structure:
// File: index.html
[Complete HTML with proper structure]

// File: src/js/app.js
[Main JavaScript application code]

// File: src/js/components/componentName.js
[Component code as ES6 modules]

// File: src/css/styles.css
[Custom CSS with Tailwind utilities]

OUTPUT RULES:
1. Each file must be clearly marked with "// File: [path]"
2. Generate complete, working code
3. Use ES6 modules for organization
4. Include proper event handling
5. Ensure cross-browser compatibility

Generate the complete application now:"""
)

APP_TEMPLATES: dict[FrameworkKind, PromptTemplate] = {
    FrameworkKind.REACT: REACT_APP_TEMPLATE,
    FrameworkKind.VUE: VUE_APP_TEMPLATE,
    FrameworkKind.VANILLA: VANILLA_APP_TEMPLATE,
}


# =============================================================================
# Explain / Fix Templates
# =============================================================================

EXPLAIN_SYSTEM_PROMPT = "You are a helpful coding assistant. Explain code clearly and concisely."

EXPLAIN_TEMPLATE = PromptTemplate(
    """Explain this {language} code:

```{language}
{code}
```"""
)

FIX_SYSTEM_PROMPT = (
    "You are a helpful coding assistant. Provide fixes for code errors with clear explanations."
)

FIX_TEMPLATE = PromptTemplate(
    """Fix this error:

Error: {error}

Code:
```
{code}
```

Provide the fixed code in a single code block and explain what was wrong."""
)

# Kind-specific fix prompts, used when the caller knows what failed
ERROR_TEMPLATES: dict[str, PromptTemplate] = {
    "syntax": PromptTemplate(
        """The following syntax error occurred:
{error}

In this code:
```
{code}
```

Fix the syntax error and return the corrected code in a single code block."""
    ),
    "type": PromptTemplate(
        """The following TypeScript error occurred:
{error}

In this code:
```typescript
{code}
```

Fix the type error by:
1. Adding proper type definitions
2. Fixing type mismatches
3. Ensuring all imports are typed

Return the corrected code with proper types in a single code block."""
    ),
    "runtime": PromptTemplate(
        """The following runtime error occurred:
{error}

In this code:
```
{code}
```

Fix the error by identifying the root cause. Explain the cause, then return the corrected \
code in a single code block."""
    ),
    "build": PromptTemplate(
        """The build failed with the following error:
{error}

This typically indicates:
1. Missing dependencies
2. Import/export issues
3. Configuration problems

Relevant code:
```
{code}
```

Explain the fix, then return the corrected code in a single code block."""
    ),
}


# =============================================================================
# Rendering
# =============================================================================


def _format_design_system(context: GenerationContext) -> str:
    tokens = context.design_tokens
    if tokens is None:
        return ""
    return (
        f"\n- Design system: primary color {tokens.primary}, secondary color "
        f"{tokens.secondary}, font family {tokens.font_family}, spacing {tokens.spacing}"
    )


def get_system_prompt(framework: FrameworkKind) -> str:
    """Get the system prompt for a framework."""
    return SYSTEM_PROMPTS[framework]


def render_app_prompt(prompt: str, context: GenerationContext) -> str:
    """Render the user-facing generation prompt for a request.

    Args:
        prompt: The user's description of the application.
        context: Project context for the request.

    Returns:
        The framework-specific application prompt.
    """
    existing = ", ".join(f.path for f in context.existing_files) or "None"
    return APP_TEMPLATES[context.framework].render(
        user_description=prompt,
        project_name=context.project_name,
        dependencies=", ".join(context.dependencies),
        existing_files=existing,
        design_system=_format_design_system(context),
    )


def render_fix_prompt(error: str, code: str, kind: str | None = None) -> str:
    """Render a fix prompt, kind-specific when `kind` names a known error kind."""
    template = ERROR_TEMPLATES.get(kind, FIX_TEMPLATE) if kind else FIX_TEMPLATE
    return template.render(error=error, code=code)
