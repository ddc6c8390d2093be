''' quotaforth : concatenative stack language with quotations '''

import sys
from quotaforth.interpreter import main

# Main function calling
if __name__ == '__main__':
    sys.exit(main())
