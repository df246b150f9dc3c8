"""Template questions used when the language model is unavailable.

Role templates are grouped by role category; technical templates carry
``[STACK]``, ``[EXP]``, ``[TYPE]``, ``[FEATURE]`` and ``[COMPONENT]``
placeholders filled in by the fallback generator.
"""
from typing import NamedTuple


class QuestionTemplate(NamedTuple):
    question: str
    answer: str


ROLE_TEMPLATES = {
    "frontend": (
        QuestionTemplate(
            "Can you explain the virtual DOM concept in React and how it improves performance?",
            "The virtual DOM is a lightweight copy of the actual DOM that React uses to optimize rendering. When state changes, React first updates the virtual DOM, compares it with the previous version (diffing), and then only applies the necessary changes to the real DOM. This process, called reconciliation, minimizes expensive DOM operations and improves performance.",
        ),
        QuestionTemplate(
            "How do you handle state management in large-scale frontend applications?",
            "For large applications, I use a combination of local component state for UI-specific states and global state management libraries like Redux or Context API for application-wide states. I structure the state to minimize nesting, use selectors for derived data, and implement middleware for side effects. This approach helps maintain predictable state flow and improves maintainability.",
        ),
        QuestionTemplate(
            "Explain the concept of CSS-in-JS and when you would use it over traditional CSS approaches.",
            "CSS-in-JS refers to styling approaches where CSS is written directly in JavaScript. Libraries like styled-components or Emotion enable component-scoped styling, dynamic styling based on props, and better encapsulation. I prefer CSS-in-JS when building component libraries or applications with highly dynamic styling needs, while I might use traditional CSS/SCSS for projects requiring strict design systems or better separation of concerns.",
        ),
    ),

    "backend": (
        QuestionTemplate(
            "How would you design a system to handle millions of concurrent requests?",
            "I would implement a layered architecture with horizontal scaling capabilities. This includes load balancers for distributing traffic, stateless application servers that can scale horizontally, caching layers using Redis/Memcached, database sharding and read replicas, and asynchronous processing for non-critical operations using message queues. I'd also implement circuit breakers and rate limiting to prevent cascading failures.",
        ),
        QuestionTemplate(
            "Explain your approach to database indexing and query optimization.",
            "I start by identifying frequently used queries and access patterns. I create indexes on columns used in WHERE, JOIN, and ORDER BY clauses, carefully balancing between read performance and write overhead. I use EXPLAIN to analyze query execution plans, optimize joins to reduce table scans, and implement denormalization where appropriate. For complex systems, I consider implementing read replicas or CQRS patterns to separate read and write operations.",
        ),
        QuestionTemplate(
            "How do you ensure the security of API endpoints?",
            "I implement multiple security layers including proper authentication (JWT/OAuth), authorization with role-based access control, input validation and sanitization, rate limiting to prevent abuse, HTTPS for transport security, and proper error handling that doesn't leak sensitive information. I also follow security best practices like preventing SQL injection, implementing CORS policies, and regular security audits.",
        ),
    ),

    "fullstack": (
        QuestionTemplate(
            "How do you approach the architecture of a full-stack application?",
            "I design full-stack applications with clear separation between frontend and backend concerns. For the backend, I implement a layered architecture (controllers, services, data access) with well-defined API contracts. The frontend is structured using component-based architecture with proper state management. I ensure consistent error handling, logging, and monitoring across the stack, and implement CI/CD pipelines for automated testing and deployment.",
        ),
        QuestionTemplate(
            "Explain how you handle data consistency between frontend and backend.",
            "I use a combination of approaches including strong typing with TypeScript or GraphQL schemas to ensure API contract consistency, implementing optimistic UI updates with proper rollback mechanisms, and leveraging caching strategies with invalidation policies. For real-time applications, I implement WebSockets or server-sent events with proper state reconciliation logic to handle conflicts.",
        ),
        QuestionTemplate(
            "How do you balance between implementing features on the frontend versus the backend?",
            "I determine the appropriate location for features based on several factors: security requirements (sensitive operations belong on the backend), performance needs (computation-heavy tasks are better on the backend while UI responsiveness is handled on frontend), reusability (shared business logic belongs on the backend), and user experience requirements. I also consider offline capabilities and whether data needs to be pre-processed before presentation.",
        ),
    ),

    "devops": (
        QuestionTemplate(
            "Explain your approach to containerization and orchestration.",
            "I use Docker for containerization to ensure consistency across environments and Kubernetes for orchestration in production. My containers follow the single responsibility principle, use multi-stage builds to minimize image size, and implement proper health checks. For Kubernetes, I organize resources using namespaces, implement auto-scaling based on metrics, use ConfigMaps and Secrets for configuration, and set up proper resource requests and limits.",
        ),
        QuestionTemplate(
            "How do you implement CI/CD pipelines for complex applications?",
            "I design CI/CD pipelines with distinct stages: build (compiling code, running linters), test (unit, integration, and end-to-end tests), security scanning (SAST/DAST tools), artifact creation, deployment to staging, automated integration tests, and finally production deployment with strategies like blue-green or canary. I implement approval gates for critical environments and automated rollback mechanisms for failed deployments.",
        ),
        QuestionTemplate(
            "Describe your approach to monitoring and observability in production systems.",
            "I implement a comprehensive observability strategy covering the three pillars: metrics (using Prometheus/Grafana for system and business metrics), logs (using ELK or similar stack with structured logging), and traces (using Jaeger/OpenTelemetry for distributed tracing). I set up alerting based on SLIs/SLOs, create dashboards for different stakeholders, and establish a clear incident response process. This helps with proactive issue detection and faster troubleshooting.",
        ),
    ),

    "datascience": (
        QuestionTemplate(
            "How do you approach feature engineering and selection for machine learning models?",
            "My approach to feature engineering starts with domain knowledge to create meaningful features, followed by statistical analysis to understand distributions and correlations. I use techniques like one-hot encoding for categorical variables, normalization/standardization for numerical features, and create interaction terms where appropriate. For feature selection, I employ methods like recursive feature elimination, LASSO regularization, or tree-based feature importance to identify the most predictive variables and reduce dimensionality.",
        ),
        QuestionTemplate(
            "Explain how you evaluate and improve model performance.",
            "I use a comprehensive evaluation framework starting with appropriate metrics (accuracy, precision/recall, F1, AUC-ROC) based on the problem type. I implement cross-validation to ensure robustness, analyze confusion matrices to identify specific error patterns, and use learning curves to diagnose overfitting/underfitting. For improvement, I iterate through hyperparameter tuning, ensemble methods, feature engineering, and collecting more data for underrepresented classes or edge cases.",
        ),
        QuestionTemplate(
            "How do you deploy machine learning models to production?",
            "I use a structured approach for ML deployment: containerizing models with Docker, implementing A/B testing frameworks to validate performance, setting up monitoring for both technical metrics (latency, throughput) and ML-specific metrics (prediction drift, feature distribution shifts). I design the system to allow for regular retraining with new data, implement feature stores for consistency, and use model versioning to enable rollbacks when necessary.",
        ),
    ),

    "mobile": (
        QuestionTemplate(
            "How do you ensure performance in mobile applications?",
            "I optimize mobile app performance through several strategies: efficient resource loading with lazy loading and image optimization, implementing proper caching strategies, minimizing network requests through batching and compression, optimizing UI rendering by flattening view hierarchies, using background threads for computational tasks, and implementing proper memory management to prevent leaks. I also use performance profiling tools regularly to identify and address bottlenecks.",
        ),
        QuestionTemplate(
            "Explain your approach to handling offline capabilities in mobile apps.",
            "I implement offline functionality using a multi-layered approach: local storage (SQLite, Realm) for data persistence, implementing sync adapters that track changes made offline, conflict resolution strategies for handling concurrent updates, background sync when connectivity is restored, and clear UI indicators of offline status. I design the app architecture around these requirements using patterns like repository pattern to abstract data sources and provide a consistent interface regardless of connection status.",
        ),
        QuestionTemplate(
            "How do you handle cross-platform development challenges?",
            "When developing cross-platform applications using frameworks like React Native or Flutter, I focus on creating abstraction layers for platform-specific code, implement responsive designs that adapt to different screen sizes, use platform detection for customizing behavior when necessary, and create separate native modules for functionality that requires deep platform integration. I maintain a comprehensive testing strategy across multiple devices to ensure consistent behavior and appearance.",
        ),
    ),
}

TECHNICAL_TEMPLATES = (
    QuestionTemplate(
        "What is your experience with [STACK]?",
        "I have [EXP] years of experience with [STACK]. I've used it for building [TYPE] applications, focusing on [FEATURE] development.",
    ),
    QuestionTemplate(
        "How do you handle error handling in [STACK]?",
        "In [STACK], I implement error handling using try-catch blocks, error boundary components, and logging. I ensure errors are properly reported and don't impact user experience.",
    ),
    QuestionTemplate(
        "Describe the architecture of a recent project you worked on using [STACK].",
        "I built a [TYPE] application using [STACK] with a focus on scalability. The architecture included [COMPONENT] layers with clear separation of concerns.",
    ),
    QuestionTemplate(
        "What are the performance optimization techniques you've used in [STACK]?",
        "For [STACK] applications, I've implemented code splitting, memoization, lazy loading, and optimized rendering cycles to improve performance.",
    ),
    QuestionTemplate(
        "How do you approach testing in [STACK]?",
        "I use a combination of unit tests, integration tests, and end-to-end tests for [STACK] applications, ensuring at least 80% code coverage.",
    ),
)

BEHAVIORAL_TEMPLATES = (
    QuestionTemplate(
        "Describe a challenging situation you faced in your previous role and how you handled it.",
        "In my previous position, I faced a tight deadline for a critical project. I organized the team, prioritized features, and communicated clearly with stakeholders to successfully deliver on time.",
    ),
    QuestionTemplate(
        "How do you handle disagreements with team members?",
        "I focus on open communication and understanding different perspectives. I look for common ground and work toward solutions that satisfy all parties while keeping project goals in mind.",
    ),
    QuestionTemplate(
        "Tell me about a time you had to learn a new technology quickly.",
        "When we needed to integrate a new framework into our project, I dedicated time to learning it through documentation, tutorials, and practice projects, becoming proficient within two weeks.",
    ),
)

# Returned when the fallback generator itself fails
MINIMAL_TEMPLATES = (
    QuestionTemplate(
        "Tell me about your experience with software development",
        "I have experience building applications using modern frameworks and tools, focusing on creating maintainable and scalable code.",
    ),
    QuestionTemplate(
        "How do you handle challenging situations?",
        "I approach challenges methodically, breaking them down into manageable parts, researching solutions, and collaborating with team members when needed.",
    ),
    QuestionTemplate(
        "What is your greatest professional achievement?",
        "My greatest achievement was leading a project that delivered a critical application on time and under budget, resulting in a 20% increase in efficiency for the business process it supported.",
    ),
    QuestionTemplate(
        "How do you stay updated with industry trends?",
        "I regularly read industry publications, participate in online communities, attend webinars and conferences, and experiment with new technologies through side projects.",
    ),
    QuestionTemplate(
        "Describe your ideal work environment",
        "My ideal work environment is collaborative, focused on continuous learning, and values both technical excellence and effective communication. I thrive in settings that balance autonomy with teamwork.",
    ),
)
